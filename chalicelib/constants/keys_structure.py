users_pk = 'users'
users_sk = '{user_id}'

user_emails_pk = 'user_emails'
user_emails_sk = '{email}'

verifications_pk = 'verifications'
verifications_sk = '{code}'

categories_pk = 'categories'
categories_sk = '{slug}'

restaurants_pk = 'restaurants'
restaurants_sk = '{restaurant_id}'

dishes_pk = 'dishes'
dishes_sk = '{dish_id}'

payments_pk = 'payments'
payments_sk = '{payment_id}'

orders_pk = 'orders'
orders_sk = '{order_id}'
